"""
Certification quiz session service
"""
