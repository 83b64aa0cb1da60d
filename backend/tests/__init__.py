# MediStock backend test suite
#
# Service tests call medistock.services directly; API tests use the Flask
# test client.
#
# Run with: pytest (from the repository root)
