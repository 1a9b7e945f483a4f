"""Whole-flight replay harness."""
