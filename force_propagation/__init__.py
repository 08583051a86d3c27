"""
Force Propagation
=================

Composition of acceleration models (point-mass and spherical harmonic gravity,
third-body corrections, aerodynamics with control-surface increments) and
numerical propagation of translational body states.
"""
