"""
Sync domain

Reconciles the local database with the remote document store. Last write
wins, compared on lastModifiedTimestamp.
"""
