"""Service catalog: services, options, add-ons and pricing"""
