"""Missed-call to booked-appointment service"""
