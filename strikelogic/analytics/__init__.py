"""Trade analytics"""
