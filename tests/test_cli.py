import io
import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock

from domain.entities import ProviderDocument, SearchResponse
from domain.errors import UpstreamError
from domain.interfaces import VectorSearchClient
from infrastructure.config import AppConfig, build_default_container
from scripts import retrieve


class StaticSearchClient(VectorSearchClient):
    def __init__(self, documents=(), error=None):
        self.documents = tuple(documents)
        self.error = error
        self.timeouts = []

    def search(self, query, *, timeout=None):
        self.timeouts.append(timeout)
        if self.error is not None:
            raise self.error
        return SearchResponse(total=len(self.documents), documents=self.documents)


class TestBuildPayload(unittest.TestCase):
    def test_flags_override_request_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "request.json"
            path.write_text(
                json.dumps({"sectionId": "section-a", "query": "from file query", "filters": {"language": "de"}}),
                encoding="utf-8",
            )
            args = retrieve.parse_args(
                ["--request-file", str(path), "--query", "from flag query", "--license", "CC-BY", "-k", "3"]
            )
            payload = retrieve.build_payload(args)

        self.assertEqual(payload["sectionId"], "section-a")
        self.assertEqual(payload["query"], "from flag query")
        self.assertEqual(payload["k"], 3)
        self.assertEqual(payload["filters"], {"language": "de", "license": ["CC-BY"]})
        self.assertNotIn("min_score", payload)


class TestMain(unittest.TestCase):
    def _run(self, argv, search_client):
        container = build_default_container(AppConfig(), search_client=search_client)
        stdout, stderr = io.StringIO(), io.StringIO()
        with mock.patch.object(retrieve, "setup_logging"), mock.patch.object(
            retrieve, "build_default_container", return_value=container
        ), redirect_stdout(stdout), redirect_stderr(stderr):
            code = retrieve.main(argv)
        return code, stdout.getvalue(), stderr.getvalue()

    def test_prints_result_json(self):
        document = ProviderDocument(
            id="post-1",
            score=0.9,
            data={
                "post_content": (
                    "Hardening a WordPress installation starts with strong passwords, two factor authentication, "
                    "regular plugin updates, least privilege roles, reliable offsite backups and a firewall"
                ),
            },
        )
        code, out, _ = self._run(
            ["--section-id", "section-a", "--query", "WordPress security tips"],
            StaticSearchClient([document]),
        )
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["chunks"][0]["id"], "chunk-post-1")

    def test_timeout_defaults_to_configured_value(self):
        search_client = StaticSearchClient()
        self._run(["--section-id", "section-a", "--query", "WordPress security tips"], search_client)
        self._run(
            ["--section-id", "section-b", "--query", "WordPress security tips", "--timeout", "4"],
            search_client,
        )
        self.assertEqual(search_client.timeouts, [30.0, 4.0])

    def test_validation_failure_exit_code(self):
        code, _, err = self._run(["--section-id", "bad", "--query", "tiny"], StaticSearchClient())
        self.assertEqual(code, 2)
        self.assertEqual(json.loads(err.strip().splitlines()[-1])["error"], "validation_error")

    def test_upstream_failure_exit_code(self):
        code, _, err = self._run(
            ["--section-id", "section-a", "--query", "WordPress security tips"],
            StaticSearchClient(error=UpstreamError("Vector search failed with status 503.", status=503)),
        )
        self.assertEqual(code, 3)
        self.assertEqual(json.loads(err.strip().splitlines()[-1])["status"], 503)


if __name__ == "__main__":
    unittest.main()
