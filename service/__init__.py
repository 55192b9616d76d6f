"""HTTP service for the EPCIS event hash generator"""
