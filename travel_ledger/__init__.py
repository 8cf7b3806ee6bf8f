"""Financial core for travel bookings: tax, commissions, ledger and reconciliation."""
