"""Inbound call intake: voice webhooks, IVR menu and digit handling"""
