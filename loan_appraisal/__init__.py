"""
Loan appraisal service.
"""
