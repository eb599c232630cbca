"""Outbound SMS dispatch and delivery-status reconciliation"""
