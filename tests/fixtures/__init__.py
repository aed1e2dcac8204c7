# tests/fixtures/__init__.py
"""Shared test extensions and shader tree builders."""
