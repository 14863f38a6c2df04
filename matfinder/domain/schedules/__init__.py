"""Schedules domain - weekly schedule entries and mat times"""
