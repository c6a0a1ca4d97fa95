"""HTTP API for the piecework payroll engine."""
