"""Business domains of the booking console"""
