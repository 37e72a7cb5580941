"""Domain services for AgencyFlow.

Each service authorizes through the Access Gate, validates, applies the change
and appends one activity entry. Services flush but never commit; the caller
owns the transaction.
"""
