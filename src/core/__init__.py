"""Rewrite engine, policy selection and response integrations."""
