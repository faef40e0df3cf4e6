"""Workflow services: routing, decisions, policy and directory administration."""
