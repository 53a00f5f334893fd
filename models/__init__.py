from .models import Account, GenerationRecord, Resource, new_object_id
