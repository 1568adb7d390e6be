# src/thyroengine/errors.py
from __future__ import annotations

from typing import Dict, Optional


class ThyroEngineError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidParameterError(ThyroEngineError, ValueError):
    """Bad patient, dose or horizon input. Raised before any stepping."""


class NumericDegeneracyError(ThyroEngineError, ArithmeticError):
    """A derivative or state value became non-finite during integration."""
