"""Shared pytest configuration."""

import jax

# Tolerance and convergence checks below rely on double precision
jax.config.update("jax_enable_x64", True)
