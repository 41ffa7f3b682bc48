"""
Mealshare Service - neighborhood food sharing backend
"""
__version__ = "1.0.0"
