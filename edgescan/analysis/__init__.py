"""Prompt building, reply extraction, cost accounting and the analysis orchestrator."""
