"""
Service layer.

- cluster_client: kubeconfig resolution and the cached client handle
- kinds: supported resource kinds and their client calls
- manifest_codec: strict manifest decoding and YAML encoding
- resource_gateway: list/get/create/delete, pod logs and manifests
- pod_replacer: delete, settle and recreate a pod from a new manifest
- manifest_assistant: example manifest drafting via a chat completions API
"""
