"""Shared utilities: exceptions, logging, metrics and retry helpers."""
