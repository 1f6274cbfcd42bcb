"""
Services Layer

Pure business logic services that:
- Accept domain inputs (entities, repositories, instants)
- Return domain outputs (entities, dicts, dataclasses)
- Do NOT depend on HTTP request/response objects
- Reach storage only through the AdminRepository port
"""
