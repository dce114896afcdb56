"""
Business services for Hotel PMS
"""
