"""
edgescan — multi-provider AI probability estimation for prediction markets.

Layers:
  providers/  — Model catalog, per-provider request/response adapters, proxy transport
  analysis/   — Prompt building, recommendation extraction + repair, cost accounting
  bot/        — Runtime plumbing (config, SQLite persistence, rate limiting)
  cli         — Command-line entry point for a single analysis call
"""
