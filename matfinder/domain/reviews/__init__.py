"""Reviews domain - star ratings per venue"""
