"""Dispatch domain load test scenarios.

Three stateful journeys: a driver working a whole route, a route with
failed stops, and pairs of devices racing to complete the same stop. The
race journey checks that exactly one completion wins and the other gets a
409 rather than a second cursor move.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import delivery_data, failure_reason, proof_of_delivery
from loadtests.helpers.response import failure_message, is_lost_race
from loadtests.helpers.state import DeliveryState


class _DeliveryJourney(SequentialTaskSet):
    stop_count: int | None = None

    def on_start(self):
        self.state = DeliveryState()

    def _create_delivery(self):
        payload = delivery_data(self.stop_count)
        with self.client.post(
            "/deliveries",
            json=payload,
            catch_response=True,
            name="POST /deliveries",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(failure_message("Create delivery", resp))
                self.interrupt()
                return
            self.state.delivery_id = resp.json()["delivery_id"]
            self.state.driver_id = payload["driver_id"]

        with self.client.get(
            f"/deliveries/{self.state.delivery_id}/stops",
            catch_response=True,
            name="GET /deliveries/{id}/stops",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(failure_message("List stops", resp))
                self.interrupt()
                return
            self.state.stop_ids = [s["stop_id"] for s in resp.json()]

    def _arrive(self, stop_id):
        with self.client.put(
            f"/deliveries/{self.state.delivery_id}/stops/{stop_id}/arrive",
            catch_response=True,
            name="PUT /deliveries/{id}/stops/{stop_id}/arrive",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(failure_message("Arrive", resp))

    def _complete(self, stop_id):
        with self.client.put(
            f"/deliveries/{self.state.delivery_id}/stops/{stop_id}/complete",
            json=proof_of_delivery(),
            catch_response=True,
            name="PUT /deliveries/{id}/stops/{stop_id}/complete",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(failure_message("Complete", resp))

    def _fail(self, stop_id):
        with self.client.put(
            f"/deliveries/{self.state.delivery_id}/stops/{stop_id}/fail",
            json={"reason": failure_reason()},
            catch_response=True,
            name="PUT /deliveries/{id}/stops/{stop_id}/fail",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(failure_message("Fail stop", resp))

    def _check_delivered(self):
        with self.client.get(
            f"/deliveries/{self.state.delivery_id}",
            catch_response=True,
            name="GET /deliveries/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(failure_message("Get delivery", resp))
                return
            status = resp.json()["status"]
            if status != "delivered":
                resp.failure(f"Route finished but delivery is {status}")
            self.state.current_status = status


class DeliveryRouteJourney(_DeliveryJourney):
    """Create -> (Arrive -> Complete) for every stop -> Delivered."""

    @task
    def create_delivery(self):
        self._create_delivery()

    @task
    def work_route(self):
        for stop_id in self.state.stop_ids:
            self._arrive(stop_id)
            self._complete(stop_id)
            self.state.next_stop += 1

    @task
    def check_progress(self):
        self.client.get(
            f"/deliveries/{self.state.delivery_id}/progress",
            name="GET /deliveries/{id}/progress",
        )
        self._check_delivered()
        self.interrupt()


class FailedStopJourney(_DeliveryJourney):
    """Create -> randomly complete or fail each stop -> Delivered."""

    stop_count = 4

    @task
    def create_delivery(self):
        self._create_delivery()

    @task
    def work_route(self):
        while not self.state.route_finished:
            stop_id = self.state.current_stop_id
            if random.random() < 0.3:
                self._fail(stop_id)
            else:
                self._complete(stop_id)
            self.state.next_stop += 1

    @task
    def check_outcome(self):
        self._check_delivered()
        self.interrupt()


class DoubleCompletionJourney(_DeliveryJourney):
    """Two completions of the same stop: one 200, one 409."""

    stop_count = 2

    @task
    def create_delivery(self):
        self._create_delivery()

    @task
    def race_first_stop(self):
        stop_id = self.state.stop_ids[0]
        url = f"/deliveries/{self.state.delivery_id}/stops/{stop_id}/complete"
        statuses = []
        for _ in range(2):
            with self.client.put(
                url,
                json={},
                catch_response=True,
                name="PUT /deliveries/{id}/stops/{stop_id}/complete [race]",
            ) as resp:
                statuses.append(resp.status_code)
                if resp.status_code == 200 or is_lost_race(resp):
                    resp.success()
                else:
                    resp.failure(failure_message("Race completion", resp))

        if sorted(statuses) != [200, 409]:
            self.user.environment.events.request.fire(
                request_type="CHECK",
                name="double completion outcome",
                response_time=0,
                response_length=0,
                exception=AssertionError(f"Expected one winner, got {statuses}"),
            )

    @task
    def verify_cursor(self):
        with self.client.get(
            f"/deliveries/{self.state.delivery_id}",
            catch_response=True,
            name="GET /deliveries/{id} [race]",
        ) as resp:
            if resp.status_code == 200 and resp.json()["current_stop_index"] != 2:
                resp.failure(f"Cursor moved twice: {resp.json()['current_stop_index']}")
        self.interrupt()


class DispatchUser(HttpUser):
    """Drivers working routes, weighted towards clean deliveries."""

    wait_time = between(0.5, 2)
    tasks = {
        DeliveryRouteJourney: 6,
        FailedStopJourney: 3,
        DoubleCompletionJourney: 1,
    }
