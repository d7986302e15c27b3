"""
Domain layer - reservation concurrency and settlement.

Pure business logic with no framework dependencies.

Structure:
- entities/: Reservation, PaymentAttempt, Payout, Resource, payment methods, payment events
- value_objects/: Money, TimeWindow, FeeSplit
- errors.py: domain exceptions with machine-readable codes
- constants.py: policy constants (window length, platform fee, minimum charge)
"""
