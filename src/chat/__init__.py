"""Real-time conversation core: session cache, completion gateway, rooms and the send coordinator."""
