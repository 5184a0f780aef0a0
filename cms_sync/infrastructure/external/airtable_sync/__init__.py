"""
Lado origen del sync: tabla Airtable.

- airtable_client: cliente REST con paginacion y backoff (429/5xx)
- table_mappings: mapeo estatico Airtable -> Webflow
- source_reader: lectura completa normalizada y escritura de la referencia
"""
