import json
import unittest

import httpx

from linksync.api import SingularityClient, normalize_array_response
from linksync.errors import ConfigurationError, RemoteStoreError
from linksync.models import DeltaOp


class NormalizeArrayResponseTests(unittest.TestCase):
    def test_bare_list_is_returned(self) -> None:
        self.assertEqual(normalize_array_response([{"id": 1}]), [{"id": 1}])

    def test_wrapped_lists_are_unwrapped(self) -> None:
        self.assertEqual(normalize_array_response({"tags": [1]}), [1])
        self.assertEqual(normalize_array_response({"kanbanStatuses": [2]}), [2])
        self.assertEqual(normalize_array_response({"items": [3]}), [3])

    def test_unknown_shape_is_empty(self) -> None:
        self.assertEqual(normalize_array_response({"count": 3}), [])
        self.assertEqual(normalize_array_response(None), [])


class SingularityClientTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: dict[tuple[str, str], httpx.Response] = {}

    def _handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.get((request.method, request.url.path), httpx.Response(404, text="missing"))

    def _client(self, token: str = "secret") -> SingularityClient:
        return SingularityClient(token, "https://api.example.test", transport=httpx.MockTransport(self._handler))

    async def test_get_task_sends_bearer_token(self) -> None:
        self.responses[("GET", "/v2/task/T-1")] = httpx.Response(200, json={"id": "T-1", "title": "Write", "checked": 1})
        client = self._client()

        task = await client.get_task("T-1")
        await client.aclose()

        self.assertEqual(task.title, "Write")
        self.assertEqual(task.checked, 1)
        self.assertEqual(self.requests[0].headers["Authorization"], "Bearer secret")

    async def test_update_task_note_sends_ops_as_json_string(self) -> None:
        self.responses[("PATCH", "/v2/task/T-1")] = httpx.Response(200, json={"id": "T-1"})
        client = self._client()
        ops = [
            DeltaOp(text="Привет\n"),
            DeltaOp(text='Obsidian: "A"', attributes={"link": "obsidian://open?vault=V&file=A.md#sid=x"}),
        ]

        await client.update_task_note("T-1", ops)
        await client.aclose()

        body = json.loads(self.requests[0].content)
        self.assertIsInstance(body["note"], str)
        decoded = json.loads(body["note"])
        self.assertEqual(decoded[0], {"insert": "Привет\n"})
        self.assertEqual(decoded[1]["attributes"]["link"], "obsidian://open?vault=V&file=A.md#sid=x")
        self.assertNotIn("ops", decoded)

    async def test_list_endpoints_pass_query_params(self) -> None:
        self.responses[("GET", "/v2/kanban-status")] = httpx.Response(
            200, json={"kanbanStatuses": [{"id": "KS-P-1-TODO", "name": "To do"}]}
        )
        self.responses[("GET", "/v2/kanban-task-status")] = httpx.Response(200, json=[])
        client = self._client()

        statuses = await client.get_kanban_statuses("P-1")
        assignments = await client.get_task_kanban_status("T-1")
        await client.aclose()

        self.assertEqual([s.id for s in statuses], ["KS-P-1-TODO"])
        self.assertEqual(assignments, [])
        self.assertEqual(self.requests[0].url.params["projectId"], "P-1")
        self.assertEqual(self.requests[1].url.params["taskId"], "T-1")

    async def test_error_status_raises_remote_store_error(self) -> None:
        client = self._client()

        with self.assertRaises(RemoteStoreError) as ctx:
            await client.get_note("N-T-404")
        await client.aclose()

        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.endpoint, "/v2/note/N-T-404")

    async def test_transport_error_raises_remote_store_error(self) -> None:
        def failing(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = SingularityClient("secret", "https://api.example.test", transport=httpx.MockTransport(failing))

        with self.assertRaises(RemoteStoreError) as ctx:
            await client.get_tags()
        await client.aclose()

        self.assertIsNone(ctx.exception.status_code)

    async def test_missing_token_raises_before_any_request(self) -> None:
        client = self._client(token="")

        with self.assertRaises(ConfigurationError):
            await client.get_tags()
        await client.aclose()

        self.assertEqual(self.requests, [])
        self.assertFalse(client.has_token)

    async def test_empty_body_returns_none(self) -> None:
        self.responses[("PATCH", "/v2/task/T-1")] = httpx.Response(204)
        client = self._client()

        result = await client.update_task_note("T-1", [DeltaOp(text="\n")])
        await client.aclose()

        self.assertIsNone(result)


if __name__ == "__main__":
    unittest.main()
