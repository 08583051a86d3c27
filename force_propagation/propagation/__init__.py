"""
Propagation Package
===================

Stepping primitives, termination conditions, dependent variables and the
propagation loop.
"""

from .propagator import PropagationLoop, TranslationalStatePropagatorSettings, propagate_translational_dynamics

__all__ = ['PropagationLoop', 'TranslationalStatePropagatorSettings', 'propagate_translational_dynamics']
