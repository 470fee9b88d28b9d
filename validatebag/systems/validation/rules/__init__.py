"""
validatebag -- Rule Catalog Building Blocks

Check functions and check factories, grouped by the part of the bag they
inspect. profiles.py assembles them into numbered catalogs.
"""
