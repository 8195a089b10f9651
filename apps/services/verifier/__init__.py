"""
Verifier service: checks AVAL registration codes against the public RAA
registry by driving its web form in a shared headless browser.
"""
