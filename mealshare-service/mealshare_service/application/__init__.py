"""
Application layer - Business services
"""
