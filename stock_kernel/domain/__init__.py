"""Pure domain layer: value objects, state machines and formulas. No I/O."""
