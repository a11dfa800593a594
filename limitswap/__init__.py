"""Limit-order derivation engine: swap state, fixed-point rates and risk gates."""
