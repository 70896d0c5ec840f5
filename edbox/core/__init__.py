"""
Core EdBox generation components: data models, output schemas and JSON repair.
"""
