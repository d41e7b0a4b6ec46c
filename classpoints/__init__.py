"""Classroom behaviour ledger and gamification engine."""

from classpoints.services.ledger import BehaviourLedger

__all__ = ["BehaviourLedger"]
