"""Configuration, clock, hashing and token codec primitives."""
