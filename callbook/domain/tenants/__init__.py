"""Tenant lookups, public shop profile, IVR settings and platform settings"""
