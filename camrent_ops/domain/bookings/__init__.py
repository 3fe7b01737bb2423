"""Bookings domain - branch booking cache, status state machine and filter engine"""
