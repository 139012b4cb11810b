"""Inbound adapters - front-ends driving the client."""
