"""Shared test fixtures for headerkit."""
