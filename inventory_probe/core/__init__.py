"""
Core resource model, inventory fetching and reconciliation.
"""
