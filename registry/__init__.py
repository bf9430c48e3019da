"""Patient registry application.

Holds the patient identity model, the records that hang off a patient,
and the services that detect and merge duplicate identities.
"""
