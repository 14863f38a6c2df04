"""Search domain - open mat lookups by day and distance"""
