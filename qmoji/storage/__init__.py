"""Local JSON-backed stores."""
