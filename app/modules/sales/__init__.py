"""
Sales admission and placement.

admission.py decides whether a multi-line sale may proceed (stock and credit);
service.py commits an admitted sale: stock decrease per line, then an invoice.
"""
