"""Withings device integration: OAuth linking, measurement sync and live vitals."""
