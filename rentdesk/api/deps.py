from rentdesk.services.whatsapp_client import WhatsAppClient


def get_messenger() -> WhatsAppClient:
    return WhatsAppClient.from_settings()
