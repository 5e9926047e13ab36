"""CDP services: camelCase models, JSON:API documents, folder decoding, funnels,
tokens, predictive segments and activation templates."""

import json
from datetime import date

import httpx
import pytest
import respx

from conftest import CDP
from treasuredata.adapters.client import JSONAPI_CONTENT_TYPE
from treasuredata.core.errors import APIError, InvalidArgumentError

AUDIENCE = {
    "id": "100",
    "name": "Customers",
    "scheduleType": "daily",
    "population": 1500,
    "createdAt": "2024-05-01T09:00:00.000Z",
    "rootFolderId": 3,
    "master": {"parentDatabaseName": "crm", "parentTableName": "customers"},
    "attributes": [{"audienceId": "100", "name": "gender", "type": "string", "parentColumn": "gender"}],
}


class TestAudiences:
    @respx.mock
    def test_list_decodes_camel_case(self, client):
        respx.get(f"{CDP}/audiences").mock(return_value=httpx.Response(200, json=[AUDIENCE]))
        audiences = client.cdp.audiences.list()
        audience = audiences[0]
        assert audience.id == "100"
        assert audience.schedule_type == "daily"
        assert audience.root_folder_id == "3"
        assert audience.master.parent_table_name == "customers"
        assert audience.attributes[0].parent_column == "gender"

    @respx.mock
    def test_create_body(self, client):
        route = respx.post(f"{CDP}/audiences").mock(return_value=httpx.Response(200, json=AUDIENCE))
        client.cdp.audiences.create("Customers", "crm", "customers", description="all")
        body = json.loads(route.calls.last.request.content)
        assert body == {
            "name": "Customers",
            "description": "all",
            "master": {"parentDatabaseName": "crm", "parentTableName": "customers"},
        }

    @respx.mock
    def test_statistics_points(self, client):
        respx.get(f"{CDP}/audiences/100/statistics").mock(
            return_value=httpx.Response(200, json=[[1714521600, 1500, True], [1714608000, 1510, True]])
        )
        points = client.cdp.audiences.statistics("100")
        assert points[1][1] == 1510


class TestSegments:
    @respx.mock
    def test_list_with_folder_filter(self, client):
        route = respx.get(f"{CDP}/audiences/100/segments").mock(
            return_value=httpx.Response(200, json=[{"id": 7, "audienceId": "100", "name": "VIP", "realtime": False}])
        )
        segments = client.cdp.segments.list("100", folder_id="9")
        assert segments[0].id == "7"
        assert route.calls.last.request.url.params["folder_id"] == "9"

    @respx.mock
    def test_create_entity_document(self, client):
        route = respx.post(f"{CDP}/entities/segments").mock(
            return_value=httpx.Response(
                200,
                json={"data": {"id": "55", "type": "segment-batch", "attributes": {"name": "VIP"}}},
                headers={"Content-Type": JSONAPI_CONTENT_TYPE},
            )
        )
        resp = client.cdp.segments.create_entity("VIP", "9", attributes={"kind": 0})
        assert resp.data.id == "55"
        assert resp.data.name == "VIP"

        request = route.calls.last.request
        assert request.headers["content-type"] == JSONAPI_CONTENT_TYPE
        body = json.loads(request.content)
        assert body["data"]["type"] == "batch-segment"
        assert body["data"]["attributes"] == {"name": "VIP", "description": "", "kind": 0}
        assert body["data"]["relationships"]["parentFolder"] == {"data": {"id": "9", "type": "folder-segment"}}

    @respx.mock
    def test_query_customers(self, client):
        respx.get(f"{CDP}/audiences/100/segments/queries/q1/customers").mock(
            return_value=httpx.Response(200, json=[{"id": "c1", "attributes": {"age": 30}}, {"id": 2}])
        )
        resp = client.cdp.segments.query_customers("100", "q1", limit=2)
        assert resp.total == 2
        assert resp.customers[1].id == "2"

    def test_requires_audience(self, client):
        with pytest.raises(InvalidArgumentError):
            client.cdp.segments.get("", "7")


class TestActivations:
    @respx.mock
    def test_create_unwraps_data(self, client):
        route = respx.post(f"{CDP}/entities/segments/55/syndications").mock(
            return_value=httpx.Response(
                200, json={"data": {"id": "300", "name": "to-s3", "segmentId": "55", "status": "active"}}
            )
        )
        activation = client.cdp.activations.create("55", "to-s3", attributes={"connectionId": "12"})
        assert activation.id == "300"
        assert activation.segment_id == "55"
        body = json.loads(route.calls.last.request.content)
        assert body == {"type": "syndication", "attributes": {"name": "to-s3", "description": "", "connectionId": "12"}}

    @respx.mock
    def test_update_status_path(self, client):
        route = respx.patch(f"{CDP}/audiences/100/segments/7/syndications/300").mock(
            return_value=httpx.Response(200, json={"id": "300", "status": "paused"})
        )
        assert client.cdp.activations.update_status("100", "7", "300", "paused").status == "paused"
        assert json.loads(route.calls.last.request.content) == {"status": "paused"}


class TestFoldersAndJourneys:
    @respx.mock
    def test_folder_create_accepts_jsonapi_response(self, client):
        respx.post(f"{CDP}/entities/folders").mock(
            return_value=httpx.Response(
                200, json={"data": {"id": "9", "type": "folder-segment", "attributes": {"name": "Campaigns"}}}
            )
        )
        folder = client.cdp.folders.create("Campaigns", parent_id="3")
        assert folder.id == "9"
        assert folder.name == "Campaigns"

    @respx.mock
    def test_folder_update_accepts_flat_response(self, client):
        respx.patch(f"{CDP}/entities/folders/9").mock(
            return_value=httpx.Response(200, json={"id": 9, "name": "Renamed"})
        )
        assert client.cdp.folders.update("9", name="Renamed").name == "Renamed"

    @respx.mock
    def test_journey_statistics_dates(self, client):
        route = respx.get(f"{CDP}/entities/journeys/j1/statistics").mock(
            return_value=httpx.Response(200, json={"data": {"completed": 10}})
        )
        stats = client.cdp.journeys.statistics("j1", from_=date(2024, 1, 1), to="2024-01-31")
        assert stats == {"completed": 10}
        params = route.calls.last.request.url.params
        assert params["from"] == "2024-01-01"
        assert params["to"] == "2024-01-31"

    @respx.mock
    def test_journey_list_by_folder(self, client):
        route = respx.get(f"{CDP}/entities/journeys").mock(
            return_value=httpx.Response(
                200, json={"data": [{"id": "j1", "type": "journey", "attributes": {"name": "Onboarding"}}]}
            )
        )
        resp = client.cdp.journeys.list("9")
        assert resp.data[0].name == "Onboarding"
        assert route.calls.last.request.url.params["folder_id"] == "9"


STAGES = [{"name": "Visited", "segmentId": 1}, {"name": "Signed up", "segmentId": 2}, {"name": "Paid", "segmentId": 3}]


class TestFunnels:
    @respx.mock
    def test_create_body(self, client):
        route = respx.post(f"{CDP}/audiences/100/funnels").mock(
            return_value=httpx.Response(
                200, json={"id": 5, "name": "Conversion", "stages": [{"id": 1, "name": "Visited", "segmentId": 1}]}
            )
        )
        funnel = client.cdp.funnels.create("100", "Conversion", STAGES, segment_folder_id=9)
        assert funnel.id == "5"
        assert funnel.stages[0].segment_id == "1"
        assert json.loads(route.calls.last.request.content) == {
            "name": "Conversion",
            "description": "",
            "segmentFolderId": 9,
            "stages": STAGES,
        }

    @pytest.mark.parametrize("count", [2, 9])
    def test_stage_count_is_checked_before_sending(self, client, count):
        stages = [{"name": f"s{i}", "segmentId": i} for i in range(count)]
        with respx.mock(assert_all_called=False) as mock:
            route = mock.post(f"{CDP}/audiences/100/funnels")
            with pytest.raises(InvalidArgumentError, match="between 3 and 8"):
                client.cdp.funnels.create("100", "Conversion", stages)
            assert not route.called

    def test_entity_update_checks_stages(self, client):
        with pytest.raises(InvalidArgumentError):
            client.cdp.funnels.update_entity("5", {"stages": STAGES[:1]})

    @respx.mock
    def test_statistics_limit(self, client):
        route = respx.get(f"{CDP}/audiences/100/funnels/5/statistics").mock(
            return_value=httpx.Response(
                200, json={"population": 900, "stages": [{"id": 1, "history": [[1714521600, 900, True]]}]}
            )
        )
        stats = client.cdp.funnels.statistics("100", "5", limit=10)
        assert stats.population == 900
        assert stats.stages[0].history[0][1] == 900
        assert route.calls.last.request.url.params["limit"] == "10"

    @respx.mock
    def test_entity_create_document(self, client):
        route = respx.post(f"{CDP}/entities/funnels").mock(
            return_value=httpx.Response(
                200, json={"data": {"id": "f1", "type": "funnel", "attributes": {"name": "Conversion"}}}
            )
        )
        resp = client.cdp.funnels.create_entity("Conversion", STAGES, parent_folder_id="9")
        assert resp.data.name == "Conversion"
        body = json.loads(route.calls.last.request.content)
        assert body["data"]["type"] == "funnel"
        assert body["data"]["attributes"]["stages"] == STAGES
        assert body["data"]["relationships"] == {"parentFolder": {"data": {"id": "9", "type": "folder-segment"}}}


class TestTokens:
    @respx.mock
    def test_list_params(self, client):
        route = respx.get(f"{CDP}/audiences/100/tokens").mock(
            return_value=httpx.Response(
                200, json=[{"id": 4, "keyColumn": "email", "attributeColumns": ["age"], "status": "active"}]
            )
        )
        tokens = client.cdp.tokens.list("100", limit=20, status="active")
        assert tokens[0].id == "4"
        assert tokens[0].key_column == "email"
        assert tokens[0].attribute_columns == ["age"]
        params = route.calls.last.request.url.params
        assert params["limit"] == "20"
        assert params["status"] == "active"
        assert "offset" not in params

    @respx.mock
    def test_create_body(self, client):
        route = respx.post(f"{CDP}/audiences/100/tokens").mock(
            return_value=httpx.Response(200, json={"id": 4, "keyColumn": "email"})
        )
        client.cdp.tokens.create("100", "email", ["age", "gender"], description="lookup")
        assert json.loads(route.calls.last.request.content) == {
            "description": "lookup",
            "keyColumn": "email",
            "attributeColumns": ["age", "gender"],
        }

    @respx.mock
    def test_delete_rejects_accepted_status(self, client):
        respx.delete(f"{CDP}/audiences/100/tokens/4").mock(return_value=httpx.Response(202))
        with pytest.raises(APIError, match="failed to delete token: 4") as excinfo:
            client.cdp.tokens.delete("100", "4")
        assert excinfo.value.status_code == 202

    @respx.mock
    def test_entity_delete_accepts_no_content(self, client):
        route = respx.delete(f"{CDP}/entities/tokens/t1").mock(return_value=httpx.Response(204))
        client.cdp.tokens.delete_entity("t1")
        assert route.called

    @respx.mock
    def test_entity_update_sends_only_given_fields(self, client):
        route = respx.patch(f"{CDP}/entities/tokens/t1").mock(
            return_value=httpx.Response(200, json={"id": "t1", "name": "renamed", "scopes": ["read"]})
        )
        token = client.cdp.tokens.update_entity("t1", name="renamed", scopes=["read"], metadata={"team": "growth"})
        assert token.scopes == ["read"]
        assert json.loads(route.calls.last.request.content) == {
            "name": "renamed",
            "scopes": ["read"],
            "metadata": {"team": "growth"},
        }


class TestPredictiveSegments:
    @pytest.mark.parametrize("thresholds", [[0.5], [0.2, 0.4, 0.6, 0.8]])
    def test_grade_thresholds_must_be_three(self, client, thresholds):
        with pytest.raises(InvalidArgumentError, match="exactly 3"):
            client.cdp.predictive_segments.create("100", "Likely buyers", "7", thresholds)

    def test_update_checks_thresholds(self, client):
        with pytest.raises(InvalidArgumentError):
            client.cdp.predictive_segments.update("100", "p1", {"gradeThresholds": [1, 2]})

    @respx.mock
    def test_create_body(self, client):
        route = respx.post(f"{CDP}/audiences/100/predictive_segments").mock(
            return_value=httpx.Response(
                200,
                json={
                    "id": 12,
                    "name": "Likely buyers",
                    "baseSegmentId": 7,
                    "gradeThresholds": [0.2, 0.5, 0.8],
                    "areaUnderRocCurve": {"trainingROC": 0.91, "validationROC": 0.88},
                },
            )
        )
        segment = client.cdp.predictive_segments.create(
            "100", "Likely buyers", "7", [0.2, 0.5, 0.8], attributes={"predictiveColumn": "purchased"}
        )
        assert segment.base_segment_id == "7"
        assert segment.area_under_roc_curve.validation_roc == 0.88
        assert json.loads(route.calls.last.request.content) == {
            "name": "Likely buyers",
            "description": "",
            "baseSegmentId": "7",
            "predictiveColumn": "purchased",
            "gradeThresholds": [0.2, 0.5, 0.8],
        }

    @respx.mock
    def test_train_posts_run(self, client):
        route = respx.post(f"{CDP}/audiences/100/predictive_segments/12/run").mock(
            return_value=httpx.Response(200, json={"id": "e1", "predictiveSegmentId": 12, "status": "queued"})
        )
        execution = client.cdp.predictive_segments.train("100", "12")
        assert execution.status == "queued"
        assert execution.predictive_segment_id == "12"
        assert route.called

    @respx.mock
    def test_guess_rule(self, client):
        respx.get(f"{CDP}/audiences/100/predictive_segments/guess_rule_async").mock(
            return_value=httpx.Response(200, json={"status": "ok", "rule": {"query": "age > 30", "status": "ok"}})
        )
        guess = client.cdp.predictive_segments.guess_rule("100")
        assert guess.rule.query == "age > 30"

    @respx.mock
    def test_entity_create_relationships(self, client):
        route = respx.post(f"{CDP}/entities/predictive_segments").mock(
            return_value=httpx.Response(
                200, json={"data": {"id": "p1", "type": "predictive-segment", "attributes": {"name": "Likely"}}}
            )
        )
        client.cdp.predictive_segments.create_entity(
            "Likely", [0.2, 0.5, 0.8], base_segment_id="7", parent_folder_id="9"
        )
        data = json.loads(route.calls.last.request.content)["data"]
        assert data["type"] == "predictive-segment"
        assert data["attributes"]["gradeThresholds"] == [0.2, 0.5, 0.8]
        assert data["relationships"] == {
            "baseSegment": {"data": {"id": "7", "type": "batch-segment"}},
            "parentFolder": {"data": {"id": "9", "type": "folder-segment"}},
        }

    @respx.mock
    def test_entity_model_features_limit(self, client):
        route = respx.get(f"{CDP}/entities/predictive_segments/p1/model/features").mock(
            return_value=httpx.Response(200, json={"data": [{"name": "age", "importance": 0.4}]})
        )
        features = client.cdp.predictive_segments.entity_model_features("p1", limit=5)
        assert features["data"][0]["name"] == "age"
        assert route.calls.last.request.url.params["limit"] == "5"


class TestActivationTemplates:
    @respx.mock
    def test_list_by_parent_segment(self, client):
        respx.get(f"{CDP}/entities/parent_segments/100/activation_templates").mock(
            return_value=httpx.Response(
                200,
                json={"data": [{"id": "t1", "type": "activation-template", "attributes": {"name": "S3 export"}}]},
            )
        )
        resp = client.cdp.activation_templates.list("100")
        assert resp.data[0].name == "S3 export"

    @respx.mock
    def test_create_sends_document(self, client):
        document = {"data": {"type": "activation-template", "attributes": {"name": "S3 export"}}}
        route = respx.post(f"{CDP}/entities/activation_templates").mock(
            return_value=httpx.Response(200, json={"data": {"id": "t1", **document["data"]}})
        )
        resp = client.cdp.activation_templates.create(document)
        assert resp.data.id == "t1"
        assert json.loads(route.calls.last.request.content) == document

    def test_create_requires_data_object(self, client):
        with pytest.raises(InvalidArgumentError):
            client.cdp.activation_templates.create({"name": "S3 export"})
