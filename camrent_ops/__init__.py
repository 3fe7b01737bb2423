"""CamRent booking console - branch manager operations over the CamRent backend"""
