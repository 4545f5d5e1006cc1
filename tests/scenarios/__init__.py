"""End-to-end scenario tests for the Shipway proxy.

Each scenario drives the HTTP API with a memory store and a scripted fake
carrier, and checks both the responses and the carrier calls made.
"""
