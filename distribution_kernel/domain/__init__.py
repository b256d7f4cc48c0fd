"""Pure functional core: value objects, state machines, and calculations."""
