"""Complaint intake package."""

from cie.intake.classifier import IntakeClassifier, IntakePolicy, InvalidInputError, classify
from cie.intake.service import IntakeService

__all__ = ["IntakeClassifier", "IntakePolicy", "InvalidInputError", "IntakeService", "classify"]
