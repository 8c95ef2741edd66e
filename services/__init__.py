"""
Reservation engine: slot generation, atomic slot claims, the booking state
machine, the cancellation window and station lifecycle rules.

Nothing in here reads the Flask request; callers pass the acting
AuthContext and, where time matters, the server clock reading.
"""
