"""Contracts domain - create, preview and sign rental contracts"""
