"""Wire contracts for the Tabichan APIs."""
