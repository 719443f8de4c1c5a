# Document store
from orderflow.models.store.document_models import Document
