"""media/ -- Temp-file staging and object-storage upload for profile images.

Layer rule: media/ imports only core/, stdlib, and third-party libraries.
auth/ reaches it through the AssetUploader protocol; api/ wires it up.
"""
