"""Deterministic template expansion.

Resolves a template's relative offsets into absolute dates for one service
start date, and turns the result into concrete service records.
"""
