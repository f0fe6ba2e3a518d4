"""View API for the account mirror."""
