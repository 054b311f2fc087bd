"""Caller identity: bearer tokens issued by the external identity provider."""
