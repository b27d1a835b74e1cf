"""Shared configuration, fingerprinting, caching and run metadata."""
