"""Strategy construction"""
