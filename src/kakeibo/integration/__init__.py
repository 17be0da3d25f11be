"""Optional external collaborators of the import pipeline."""

from kakeibo.integration.remote_classifier import RemoteClassifier

__all__ = ["RemoteClassifier"]
