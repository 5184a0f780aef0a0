"""
Sincronizacion one-way Airtable -> Webflow CMS.

Cada ciclo lee el estado completo de ambos lados, calcula un plan de
mutaciones (create/update/delete) y lo aplica contra la coleccion de Webflow.
"""

__version__ = "1.0.0"
