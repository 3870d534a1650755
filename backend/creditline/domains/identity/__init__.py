"""Identity domain: credentials to tenant identity."""
