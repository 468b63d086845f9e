"""auth/ -- Authentication and authorization package for Craterra.

Layer rule: auth/ imports stdlib, third-party libraries, core/ and catalog/
(the ownership gate loads albums). It does NOT import from api/ or media/.
api/ imports from auth/, not the other way around.
"""
