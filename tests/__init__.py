"""Test package for Nightmare Assault.

Controller tests drive the pure ``update`` functions directly with key and
timer events; the pygame tests run headlessly using the SDL dummy drivers.
Run ``pytest`` from the project root.
"""
