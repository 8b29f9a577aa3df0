"""Integration tests for vconnect.

These tests talk to a real host cluster and require:
- A kubeconfig ($KUBECONFIG or ~/.kube/config), optionally VCONNECT_TEST_CONTEXT
- For end-to-end setup, a running virtual cluster in VCONNECT_TEST_VCLUSTER=name/namespace

Tests are marked with @pytest.mark.integration and can be run with:
    pytest tests/integration/ -m integration

To skip integration tests:
    pytest -m "not integration"
"""
