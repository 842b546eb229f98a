"""Attention-trust scoring engine with reward accrual and watch-time deduplication."""
