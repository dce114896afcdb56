"""
Hotel PMS: property management JSON API on Flask and Supabase
"""
__version__ = '1.0.0'
