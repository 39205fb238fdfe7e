"""
Tests for the TaskDispatcher service.

Tests cover:
- CeleryTaskDispatcher methods
- NoOpTaskDispatcher methods
- Dispatcher selection based on environment

Run with: pytest backend/tests/test_task_dispatcher.py -v
"""
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest


class TestNoOpTaskDispatcher:
    """Tests for NoOpTaskDispatcher (always available, no dependencies)."""

    def test_dispatch_deploy_returns_task_id(self):
        """Test dispatch_deploy returns a task ID."""
        from slingshot.services.task_dispatcher import NoOpTaskDispatcher

        deploy_id = uuid4()

        result = NoOpTaskDispatcher().dispatch_deploy(deploy_id)

        assert result == f"noop-deploy-{deploy_id}"

    def test_dispatch_stop_returns_task_id(self):
        """Test dispatch_stop returns a task ID."""
        from slingshot.services.task_dispatcher import NoOpTaskDispatcher

        deploy_id = uuid4()

        result = NoOpTaskDispatcher().dispatch_stop(deploy_id)

        assert result == f"noop-stop-{deploy_id}"

    def test_dispatch_build_returns_task_id(self):
        """Test dispatch_build returns a task ID."""
        from slingshot.services.task_dispatcher import NoOpTaskDispatcher

        build_id = uuid4()

        result = NoOpTaskDispatcher().dispatch_build(build_id)

        assert result == f"noop-build-{build_id}"


class TestCeleryTaskDispatcher:
    """Tests for CeleryTaskDispatcher (mocked Celery tasks)."""

    def test_dispatch_deploy_calls_celery_task(self):
        """Test dispatch_deploy calls the Celery task."""
        deploy_id = uuid4()

        mock_task = MagicMock()
        mock_task.delay.return_value = MagicMock(id="celery-task-123")

        with patch.dict('sys.modules', {'slingshot.worker': MagicMock(execute_deploy_task=mock_task)}):
            with patch('slingshot.services.task_dispatcher.logger'):
                from slingshot.services.task_dispatcher import CeleryTaskDispatcher
                result = CeleryTaskDispatcher().dispatch_deploy(deploy_id)

        assert result == "celery-task-123"
        mock_task.delay.assert_called_once_with(str(deploy_id))

    def test_dispatch_stop_calls_celery_task(self):
        """Test dispatch_stop calls the Celery task with the signal."""
        deploy_id = uuid4()

        mock_task = MagicMock()
        mock_task.delay.return_value = MagicMock(id="celery-task-456")

        with patch.dict('sys.modules', {'slingshot.worker': MagicMock(stop_deploy_task=mock_task)}):
            with patch('slingshot.services.task_dispatcher.logger'):
                from slingshot.services.task_dispatcher import CeleryTaskDispatcher
                result = CeleryTaskDispatcher().dispatch_stop(deploy_id, "SIGINT")

        assert result == "celery-task-456"
        mock_task.delay.assert_called_once_with(str(deploy_id), "SIGINT")

    def test_dispatch_build_sends_task_by_name(self):
        """Test dispatch_build sends the configured build task."""
        pytest.importorskip("celery")
        from slingshot.core.config import settings
        from slingshot.services.task_dispatcher import CeleryTaskDispatcher

        build_id = uuid4()

        with patch('slingshot.core.celery_app.celery_app.send_task') as mock_send:
            mock_send.return_value = MagicMock(id="celery-build-123")
            result = CeleryTaskDispatcher().dispatch_build(build_id)

        assert result == "celery-build-123"
        mock_send.assert_called_once_with(settings.BUILD_TASK_NAME, args=[str(build_id)])


class TestCeleryTaskDispatcherErrorHandling:
    """Tests for CeleryTaskDispatcher error handling."""

    def test_dispatch_deploy_returns_none_on_error(self):
        """Test dispatch_deploy returns None when task dispatch fails."""
        from slingshot.services.task_dispatcher import CeleryTaskDispatcher

        # Make the import fail
        with patch.dict('sys.modules', {'slingshot.worker': None}):
            with patch('slingshot.services.task_dispatcher.logger'):
                result = CeleryTaskDispatcher().dispatch_deploy(uuid4())

        assert result is None

    def test_dispatch_stop_returns_none_on_error(self):
        """Test dispatch_stop returns None when task dispatch fails."""
        from slingshot.services.task_dispatcher import CeleryTaskDispatcher

        with patch.dict('sys.modules', {'slingshot.worker': None}):
            with patch('slingshot.services.task_dispatcher.logger'):
                result = CeleryTaskDispatcher().dispatch_stop(uuid4())

        assert result is None

    def test_dispatch_build_returns_none_on_error(self):
        """Test dispatch_build returns None when the broker is unavailable."""
        pytest.importorskip("celery")
        from slingshot.services.task_dispatcher import CeleryTaskDispatcher

        with patch('slingshot.core.celery_app.celery_app.send_task', side_effect=ConnectionError("no broker")):
            with patch('slingshot.services.task_dispatcher.logger'):
                result = CeleryTaskDispatcher().dispatch_build(uuid4())

        assert result is None


class TestDispatcherSelection:
    """Tests for dispatcher selection based on environment."""

    def test_creates_noop_dispatcher_for_test_environment(self):
        """Test that NoOpTaskDispatcher is created in test environment."""
        from slingshot.services.task_dispatcher import NoOpTaskDispatcher, _create_dispatcher

        with patch('slingshot.services.task_dispatcher.settings') as mock_settings:
            mock_settings.ENVIRONMENT = "test"
            dispatcher = _create_dispatcher()

        assert isinstance(dispatcher, NoOpTaskDispatcher)

    def test_creates_celery_dispatcher_for_production(self):
        """Test that CeleryTaskDispatcher is created in production."""
        from slingshot.services.task_dispatcher import CeleryTaskDispatcher, _create_dispatcher

        with patch('slingshot.services.task_dispatcher.settings') as mock_settings:
            mock_settings.ENVIRONMENT = "production"
            dispatcher = _create_dispatcher()

        assert isinstance(dispatcher, CeleryTaskDispatcher)

    def test_singleton_is_noop_under_tests(self):
        from slingshot.services.task_dispatcher import NoOpTaskDispatcher, task_dispatcher

        assert isinstance(task_dispatcher, NoOpTaskDispatcher)


class TestTaskDispatcherProtocol:
    """Tests for TaskDispatcherProtocol compliance."""

    @pytest.mark.parametrize("name", ["NoOpTaskDispatcher", "CeleryTaskDispatcher"])
    def test_dispatcher_implements_protocol(self, name):
        from slingshot.services import task_dispatcher as module

        dispatcher = getattr(module, name)()

        assert hasattr(dispatcher, 'dispatch_deploy')
        assert hasattr(dispatcher, 'dispatch_stop')
        assert hasattr(dispatcher, 'dispatch_build')


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
