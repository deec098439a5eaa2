"""Booking core for the Loft Golf Studios simulator bays."""
