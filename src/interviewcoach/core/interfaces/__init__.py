"""Protocols for the oracle, tools, event sinks, session stores and job search."""
