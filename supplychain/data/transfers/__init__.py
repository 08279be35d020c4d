"""Transfer request models"""
