"""
Infrastructure layer - Storage, messaging and security adapters
"""
