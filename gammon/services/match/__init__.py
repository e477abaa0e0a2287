"""Match domain services: dice, opening roll, concurrency guard, session
controller and settlement.

HTTP routes and socket handlers import from here; transport concerns stay
out of these modules.
"""
