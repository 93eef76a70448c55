"""Banking domain package.

This package contains the domain model for multi-bank access: accounts,
bookings, balances, the adapter contract, SCA authorisation and booking
reconciliation.
"""
