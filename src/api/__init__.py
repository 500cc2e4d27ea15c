"""
HTTP API for the Smart Calendar engine
"""
