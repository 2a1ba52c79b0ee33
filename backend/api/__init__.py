"""
HTTP-facing glue: a long-lived map session driven by API requests.
"""
