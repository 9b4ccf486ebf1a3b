"""Connector, execution and token core of the gateway."""
