"""
TenderDesk - Tender bid-lifecycle and CRM backend
"""
