"""Core types shared across relaybot packages."""
