"""Shared model bases"""
