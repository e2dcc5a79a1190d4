"""Option chain snapshots"""
