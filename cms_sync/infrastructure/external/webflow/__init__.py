"""
Lado espejo del sync: coleccion de Webflow CMS.
"""
