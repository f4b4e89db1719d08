"""
Dash front end: layout, callbacks and per-user session wiring
"""
