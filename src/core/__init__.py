"""Core value objects, errors and configuration"""
