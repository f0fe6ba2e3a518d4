"""Test suite for the account mirror."""
