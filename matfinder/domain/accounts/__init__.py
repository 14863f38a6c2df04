"""Accounts domain - registration, verification and profile settings"""
