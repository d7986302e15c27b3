from reservation_engine.application.interfaces.idempotency_repo import IdempotencyRecord, IdempotencyRepo


class InMemoryIdempotencyRepo(IdempotencyRepo):
    def __init__(self) -> None:
        self.records: dict[tuple[str, str], IdempotencyRecord] = {}

    async def get(self, scope: str, idem_key: str) -> IdempotencyRecord | None:
        return self.records.get((scope, idem_key))

    async def save(self, record: IdempotencyRecord) -> None:
        key = (record.scope, record.idem_key)
        if key in self.records:
            raise ValueError(f"Idempotency key already stored: {record.idem_key}")
        self.records[key] = record
