"""Venues domain - gyms and teams"""
