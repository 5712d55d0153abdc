"""Paired access/refresh token authentication with per-device revocation."""
