"""Test package for the N-back trainer.

Core tests drive the engine with a fake clock, so timing is exact and no
window is opened. UI smoke tests use pygame's dummy video driver. To run
these tests, execute ``pytest`` from the project root.
"""
