import contextlib
import io
import logging
import unittest

from boreholegp.utilities.decorators import log_print

logger = logging.getLogger("tests.log_print")


class TestLogPrint(unittest.TestCase):
    def test_print_redirected_to_logger(self):
        """Printed lines are logged rather than written to stdout."""

        @log_print(logger)
        def noisy():
            print("first line")
            print()
            print("second line")

        with contextlib.redirect_stdout(io.StringIO()) as stdout, self.assertLogs(
            logger, level="DEBUG"
        ) as logs:
            noisy()

        self.assertEqual("", stdout.getvalue())
        self.assertEqual(
            ["DEBUG:tests.log_print:first line", "DEBUG:tests.log_print:second line"],
            logs.output,
        )

    def test_log_level(self):
        @log_print(logger, level=logging.INFO)
        def noisy():
            print("message")

        with self.assertLogs(logger, level="INFO") as logs:
            noisy()

        self.assertEqual(["INFO:tests.log_print:message"], logs.output)

    def test_return_value(self):
        @log_print(logger)
        def function_with_return_value():
            print("This print should be logged")
            return 42

        with contextlib.redirect_stdout(io.StringIO()):
            self.assertEqual(42, function_with_return_value())

    def test_output_logged_when_exception_raised(self):
        """Anything printed before an exception is still logged, and the exception
        propagates."""

        @log_print(logger)
        def failing():
            print("about to fail")
            raise RuntimeError("failed")

        with self.assertLogs(logger, level="DEBUG") as logs, self.assertRaises(
            RuntimeError
        ):
            failing()

        self.assertEqual(["DEBUG:tests.log_print:about to fail"], logs.output)


if __name__ == "__main__":
    unittest.main()
