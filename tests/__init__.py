"""Test package for HEAL CODE.

Core modules are tested with an injected fake clock, so every timer and
resolving delay is driven by hand. The UI smoke tests run headlessly using
pygame's dummy video driver. To run these tests, execute ``pytest`` from the
project root.
"""
