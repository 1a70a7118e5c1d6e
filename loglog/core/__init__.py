"""Logger core: entry construction, context propagation, formatting and timers."""
