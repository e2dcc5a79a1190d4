"""Profit-matrix simulation"""
