"""Test package for Maths Sprint.

Core tests drive the race engine with a fake clock and scripted random
draws.  The UI tests run headlessly using pygame's dummy video driver to
avoid opening real windows.  Run ``pytest`` from the project root.
"""
