"""
AI collaborators: conflict suggestions and event extraction
"""
