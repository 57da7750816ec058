"""Booking lifecycle and time-credit settlement core."""
