"""Cloud resource adapters."""
