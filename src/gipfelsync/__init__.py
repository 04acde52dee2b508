"""Reconcile climbing data from several sources into one canonical store."""
