"""
Scheduling domain

Availability for public booking pages, the booking conflict guard shared by the
public and staff flows, staff appointment management and business hours.
"""
