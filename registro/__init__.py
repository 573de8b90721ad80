"""Vehicle registry: certificate eligibility, validity checks and reconciliation."""
