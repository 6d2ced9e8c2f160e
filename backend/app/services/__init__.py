"""
MemoTap Backend — Services Layer
==================================

Service Inventory:
    - key_pool:           CredentialPool, Gemini API key rotation
    - llm_base:           GenerativeTransport interface
    - gemini_service:     GeminiTransport (google-genai)
    - response_parser:    model reply → ExtractionResult
    - extraction_service: ExtractionPipeline (transcribe → extract with failover)
    - audio_service:      upload validation
    - recording_service:  process workflow + recording CRUD
    - task_service, note_service, reminder_service: item CRUD
"""
