"""OrderHub - custom-manufacturing order coordination API"""
