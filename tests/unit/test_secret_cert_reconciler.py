"""Tests for the Secret certificate reconciler."""

from __future__ import annotations

import pytest

from factories import make_api_definition_body, make_secret_body
from tyk_cert_operator.config import OperatorConfig
from tyk_cert_operator.constants import EVENT_REASON_CERTIFICATE_UPLOADED, FINALIZER
from tyk_cert_operator.handlers.secret_cert import SecretCertReconciler
from tyk_cert_operator.models import ReconcileResult, SecretRef
from tyk_cert_operator.services.tyk.exceptions import TykAPIError
from tyk_cert_operator.utils.certs import certificate_id
from tyk_cert_operator.utils.errors import (
    CertificateUploadError,
    ConflictError,
    ContextResolutionError,
    NotFoundError,
)


@pytest.fixture
def reconciler(store, certificate_store, operator_config):
    return SecretCertReconciler(store=store, certificate_store=certificate_store, config=operator_config)


class TestSkippedSecrets:
    """Secrets the reconciler must leave untouched."""

    def test_missing_secret_is_done(self, reconciler, store, certificate_store):
        result = reconciler.reconcile(SecretRef("default", "gone"))

        assert result == ReconcileResult()
        assert store.writes == 0
        certificate_store.upload.assert_not_called()

    def test_non_tls_secret_causes_no_writes(self, reconciler, store, certificate_store, tls_pair):
        ref = store.add_secret(
            make_secret_body(key=tls_pair.key, crt=tls_pair.crt, type_="Opaque")
        )
        store.add_api_definition(
            make_api_definition_body("httpbin", certificate_secret_names=["web-tls"])
        )

        result = reconciler.reconcile(ref)

        assert result.done
        assert store.writes == 0
        certificate_store.upload.assert_not_called()
        assert FINALIZER not in store.secret(ref)["metadata"].get("finalizers", [])

    @pytest.mark.parametrize("missing", ["key", "crt"])
    def test_missing_key_material_causes_no_writes(
        self, reconciler, store, certificate_store, tls_pair, missing
    ):
        material = {"key": tls_pair.key, "crt": tls_pair.crt}
        material[missing] = None
        ref = store.add_secret(make_secret_body(**material))
        store.add_api_definition(
            make_api_definition_body("httpbin", certificate_secret_names=["web-tls"])
        )

        result = reconciler.reconcile(ref)

        assert result.done
        assert store.writes == 0
        certificate_store.upload.assert_not_called()

    def test_unresolvable_context_raises(self, store, certificate_store, tls_pair):
        reconciler = SecretCertReconciler(store, certificate_store, OperatorConfig())
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))

        with pytest.raises(ContextResolutionError) as exc_info:
            reconciler.reconcile(ref)

        assert "TYK_URL" in str(exc_info.value)
        assert store.writes == 0


class TestFinalizer:
    """Finalizer handling on live Secrets."""

    def test_finalizer_added_once_key_material_present(self, reconciler, store, tls_pair):
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))

        result = reconciler.reconcile(ref)

        assert result.done
        assert len(store.secret_updates) == 1
        assert store.secret(ref)["metadata"]["finalizers"] == [FINALIZER]

    def test_existing_finalizer_not_rewritten(self, reconciler, store, tls_pair):
        ref = store.add_secret(
            make_secret_body(key=tls_pair.key, crt=tls_pair.crt, finalizers=["other", FINALIZER])
        )

        reconciler.reconcile(ref)

        assert store.secret_updates == []

    def test_secret_data_is_never_written(self, reconciler, store, tls_pair):
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))
        original_data = dict(store.secret(ref)["data"])

        reconciler.reconcile(ref)

        assert store.secret(ref)["data"] == original_data

    @pytest.mark.parametrize("error", [ConflictError("stale"), NotFoundError("gone")])
    def test_finalizer_race_requeues(self, reconciler, store, certificate_store, tls_pair, error):
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))
        store.update_secret_errors.append(error)

        result = reconciler.reconcile(ref)

        assert result.requeue
        certificate_store.upload.assert_not_called()


class TestPropagation:
    """Uploading certificates and writing their IDs into ApiDefinitions."""

    def test_no_api_definitions_skips_upload(self, reconciler, store, certificate_store, tls_pair):
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))

        assert reconciler.reconcile(ref).done
        certificate_store.upload.assert_not_called()

    def test_unreferenced_secret_skips_upload(self, reconciler, store, certificate_store, tls_pair):
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))
        store.add_api_definition(
            make_api_definition_body("httpbin", certificate_secret_names=["someone-else"])
        )

        assert reconciler.reconcile(ref).done
        certificate_store.upload.assert_not_called()
        assert store.api_definition_updates == []

    def test_upload_sends_key_and_certificate(
        self, reconciler, store, certificate_store, tls_pair, tyk_env
    ):
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))
        store.add_api_definition(
            make_api_definition_body("httpbin", certificate_secret_names=["web-tls"])
        )

        reconciler.reconcile(ref)

        certificate_store.upload.assert_called_once_with(tyk_env, tls_pair.key, tls_pair.crt)

    def test_single_upload_for_many_matches(self, reconciler, store, certificate_store, tls_pair):
        certificate_store.upload.return_value = "org1abc"
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))
        store.add_api_definition(
            make_api_definition_body(
                "httpbin",
                upstream_certificate_refs={"upstream.example.com": "web-tls"},
                certificate_secret_names=["web-tls"],
            )
        )
        store.add_api_definition(
            make_api_definition_body(
                "payments",
                pinned_public_keys_refs={"pay.example.com": "web-tls"},
            )
        )

        result = reconciler.reconcile(ref)

        assert result.done
        assert certificate_store.upload.call_count == 1
        assert len(store.api_definition_updates) == 3
        httpbin = store.api_definition("httpbin")["spec"]
        payments = store.api_definition("payments")["spec"]
        assert httpbin["upstream_certificates"]["upstream.example.com"] == "org1abc"
        assert httpbin["certificates"] == ["org1abc"]
        assert payments["pinned_public_keys"]["pay.example.com"] == "org1abc"

    def test_uploaded_id_lands_in_every_output(self, reconciler, store, certificate_store, tls_pair):
        certificate_store.upload.return_value = "org1abc"
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))
        store.add_api_definition(
            make_api_definition_body(
                "httpbin",
                upstream_certificate_refs={"upstream.example.com": "web-tls", "other.example.com": "x"},
                pinned_public_keys_refs={"pin.example.com": "web-tls"},
                certificate_secret_names=["web-tls"],
            )
        )

        reconciler.reconcile(ref)

        spec = store.api_definition("httpbin")["spec"]
        assert spec["upstream_certificates"] == {"upstream.example.com": "org1abc"}
        assert spec["pinned_public_keys"] == {"pin.example.com": "org1abc"}
        assert spec["certificates"] == ["org1abc"]
        # reference surfaces are inputs only
        assert spec["upstream_certificate_refs"] == {"upstream.example.com": "web-tls", "other.example.com": "x"}
        assert spec["certificate_secret_names"] == ["web-tls"]

    def test_existing_outputs_for_other_domains_preserved(
        self, reconciler, store, certificate_store, tls_pair
    ):
        certificate_store.upload.return_value = "org1abc"
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))
        store.add_api_definition(
            make_api_definition_body(
                "httpbin",
                upstream_certificate_refs={"upstream.example.com": "web-tls"},
                upstream_certificates={"legacy.example.com": "org1old"},
            )
        )

        reconciler.reconcile(ref)

        assert store.api_definition("httpbin")["spec"]["upstream_certificates"] == {
            "legacy.example.com": "org1old",
            "upstream.example.com": "org1abc",
        }

    def test_rerun_is_idempotent(self, reconciler, store, certificate_store, tls_pair):
        certificate_store.upload.return_value = certificate_id("org1", tls_pair.crt)
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))
        store.add_api_definition(
            make_api_definition_body(
                "httpbin",
                upstream_certificate_refs={"upstream.example.com": "web-tls"},
                certificate_secret_names=["web-tls"],
            )
        )

        reconciler.reconcile(ref)
        spec_after_first = store.api_definition("httpbin")["spec"]
        writes_after_first = store.writes

        result = reconciler.reconcile(ref)

        assert result.done
        assert certificate_store.upload.call_count == 1
        assert store.writes == writes_after_first
        assert store.api_definition("httpbin")["spec"] == spec_after_first

    def test_converged_outputs_skip_upload(self, reconciler, store, certificate_store, tls_pair):
        cert_id = certificate_id("org1", tls_pair.crt)
        ref = store.add_secret(
            make_secret_body(key=tls_pair.key, crt=tls_pair.crt, finalizers=[FINALIZER])
        )
        store.add_api_definition(
            make_api_definition_body(
                "httpbin",
                upstream_certificate_refs={"upstream.example.com": "web-tls"},
                upstream_certificates={"upstream.example.com": cert_id},
            )
        )

        assert reconciler.reconcile(ref).done
        certificate_store.upload.assert_not_called()
        assert store.writes == 0

    def test_partially_converged_outputs_upload(self, reconciler, store, certificate_store, tls_pair):
        cert_id = certificate_id("org1", tls_pair.crt)
        certificate_store.upload.return_value = cert_id
        ref = store.add_secret(
            make_secret_body(key=tls_pair.key, crt=tls_pair.crt, finalizers=[FINALIZER])
        )
        store.add_api_definition(
            make_api_definition_body(
                "httpbin",
                upstream_certificate_refs={"upstream.example.com": "web-tls"},
                upstream_certificates={"upstream.example.com": cert_id},
                certificate_secret_names=["web-tls"],
            )
        )

        assert reconciler.reconcile(ref).done
        certificate_store.upload.assert_called_once()
        assert store.api_definition("httpbin")["spec"]["certificates"] == [cert_id]
        assert len(store.api_definition_updates) == 1

    def test_api_definitions_in_other_namespaces_untouched(
        self, reconciler, store, certificate_store, tls_pair
    ):
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))
        store.add_api_definition(
            make_api_definition_body("httpbin", namespace="other", certificate_secret_names=["web-tls"])
        )

        assert reconciler.reconcile(ref).done
        certificate_store.upload.assert_not_called()
        assert "certificates" not in store.api_definition("httpbin", namespace="other")["spec"]

    def test_certificates_slot_holds_last_written_secret(
        self, reconciler, store, certificate_store, tls_pair, other_tls_pair
    ):
        certificate_store.upload.side_effect = (
            lambda env, key, crt: "org1web" if crt == tls_pair.crt else "org1api"
        )
        web = store.add_secret(make_secret_body("web-tls", key=tls_pair.key, crt=tls_pair.crt))
        api = store.add_secret(make_secret_body("api-tls", key=other_tls_pair.key, crt=other_tls_pair.crt))
        store.add_api_definition(
            make_api_definition_body("httpbin", certificate_secret_names=["web-tls", "api-tls"])
        )

        reconciler.reconcile(web)
        assert store.api_definition("httpbin")["spec"]["certificates"] == ["org1web"]

        reconciler.reconcile(api)
        assert store.api_definition("httpbin")["spec"]["certificates"] == ["org1api"]

    def test_upload_event_emitted(self, reconciler, store, tls_pair, mock_kopf_event):
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))
        store.add_api_definition(
            make_api_definition_body("httpbin", certificate_secret_names=["web-tls"])
        )

        reconciler.reconcile(ref)

        reasons = [c.kwargs["reason"] for c in mock_kopf_event.call_args_list]
        assert EVENT_REASON_CERTIFICATE_UPLOADED in reasons


class TestFailures:
    """Failure handling during a pass."""

    def test_upload_failure_aborts_pass(self, reconciler, store, certificate_store, tls_pair):
        certificate_store.upload.side_effect = TykAPIError("Tyk API error: boom", status_code=500)
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))
        store.add_api_definition(
            make_api_definition_body("httpbin", certificate_secret_names=["web-tls"])
        )
        store.add_api_definition(
            make_api_definition_body("payments", certificate_secret_names=["web-tls"])
        )

        with pytest.raises(CertificateUploadError):
            reconciler.reconcile(ref)

        assert certificate_store.upload.call_count == 1
        assert store.api_definition_updates == []

    def test_list_failure_propagates(self, reconciler, store, tls_pair):
        store.list_error = RuntimeError("apiserver unavailable")
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))

        with pytest.raises(RuntimeError):
            reconciler.reconcile(ref)

    @pytest.mark.parametrize("error", [ConflictError("stale"), NotFoundError("gone")])
    def test_update_race_short_circuits(self, reconciler, store, tls_pair, error):
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))
        store.add_api_definition(
            make_api_definition_body("httpbin", certificate_secret_names=["web-tls"])
        )
        store.add_api_definition(
            make_api_definition_body("payments", certificate_secret_names=["web-tls"])
        )
        store.update_api_definition_errors.append(error)

        result = reconciler.reconcile(ref)

        assert result == ReconcileResult(requeue=True)
        assert store.api_definition_updates == []

    def test_other_update_failure_continues(self, reconciler, store, tls_pair):
        certificate_id = "org1cert"
        ref = store.add_secret(make_secret_body(key=tls_pair.key, crt=tls_pair.crt))
        store.add_api_definition(
            make_api_definition_body("httpbin", certificate_secret_names=["web-tls"])
        )
        store.add_api_definition(
            make_api_definition_body("payments", certificate_secret_names=["web-tls"])
        )
        store.update_api_definition_errors.append(RuntimeError("admission webhook denied"))

        result = reconciler.reconcile(ref)

        assert result.requeue
        assert "certificates" not in store.api_definition("httpbin")["spec"]
        assert store.api_definition("payments")["spec"]["certificates"] == [certificate_id]
