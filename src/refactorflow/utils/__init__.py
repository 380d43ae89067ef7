"""Utility helpers shared across refactorflow."""
