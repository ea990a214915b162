"""Triage Desk: conversational triage that hands customers to human departments."""
