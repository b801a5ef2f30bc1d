"""Pure settlement and calibration logic for PROPRED.

This package contains side-effect-free building blocks:

- ``tip_rules``   - ordered rule table that settles a free-text tip against
                    a final score (win / loss / push)
- ``calibration`` - confidence-band reducer over resolved predictions

Nothing in this package imports from ``backend.services`` or ``backend.models``.
All modules are unit-testable in isolation.
"""
