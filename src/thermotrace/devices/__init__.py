"""Hardware byte sources (currently the pyserial probe connection)."""
