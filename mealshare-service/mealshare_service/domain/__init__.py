"""
Domain layer - Entities, failures and repository contracts
"""
