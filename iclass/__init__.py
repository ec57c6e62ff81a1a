"""
iclass – command-line client for BUAA iClass (login, course queries, timed check-in).
"""
