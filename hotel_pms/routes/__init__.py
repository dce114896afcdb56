"""
HTTP blueprints for the Hotel PMS JSON API
"""
