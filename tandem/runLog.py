# Copyright 2019 TerraPower, LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

r"""
Console output (information, warnings, errors) of a coupled TANDEM run.

Every process of the coupled job logs through this module:

.. code::

    from tandem import runLog

    runLog.info("Picard iteration 3 converged")
    runLog.warning("heat source has no fissionable cells", single=True)

The primary rank writes to stdout. Worker ranks write to one file each under
``logs/``, which the primary concatenates at :py:func:`close`. Each message is
prefixed with its level and, on workers, the rank (``[warn-003] ...``) so that a
neutronics rank can be told apart from a heat/fluids rank in the merged log.

``single=True`` messages are emitted only once per label; duplicated warnings are
counted and summarized by :py:func:`warningReport` at the end of a run.
"""
from glob import glob
import collections
import logging
import operator
import os
import sys
import time

from tandem import context


_ADD_LOG_METHOD_STR = """def {0}(self, message, *args, **kws):
    if self.isEnabledFor({1}):
        self._log({1}, message, args, **kws)
logging.Logger.{0} = {0}"""
_WHITE_SPACE = " " * 6
LOG_DIR = os.path.join(os.getcwd(), "logs")
OS_SECONDS_TIMEOUT = 2 * 60
SEP = "|"
STDERR_LOGGER_NAME = "TANDEM_ERROR"
STDOUT_LOGGER_NAME = "TANDEM"

# (level name, level number, short tag) in increasing severity
_LEVELS = (
    ("debug", logging.DEBUG, "dbug"),
    ("extra", 15, "xtra"),
    ("info", logging.INFO, "info"),
    ("important", 25, "impt"),
    ("prompt", 27, "prmt"),
    ("warning", logging.WARNING, "warn"),
    ("error", logging.ERROR, "err "),
    ("header", 100, None),
)


class _RunLog:
    """
    Owns the loggers of one process.

    The primary process prints log-formatted statements to stdout and stderr. Worker
    processes pipe everything to log files.
    """

    STDERR_NAME = "{0}.{1:04d}.stderr"
    STDOUT_NAME = "{0}.{1:04d}.stdout"

    def __init__(self, mpiRank=0):
        """
        Build a log object.

        Parameters
        ----------
        mpiRank : int
            Rank of this process in the world communicator. Zero is the primary process.
            This should not be adjusted after instantiation.
        """
        self._mpiRank = mpiRank
        self._verbosity = logging.INFO
        self.initialErr = None
        self.logLevels = None
        self._logLevelNumbers = []
        self.logger = None
        self.stderrLogger = None

        self.setNullLoggers()
        self._setLogLevels()

    def setNullLoggers(self):
        """Point both loggers at the stream-only null loggers."""
        self.logger = NullLogger("NULL")
        self.stderrLogger = NullLogger("NULL2", isStderr=True)

    def _setLogLevels(self):
        """Fill the logLevels table with prefixes that carry the MPI rank."""
        rank = "" if self._mpiRank == 0 else "-{:>03d}".format(self._mpiRank)
        self.logLevels = collections.OrderedDict()
        for name, value, tag in _LEVELS:
            self.logLevels[name] = (value, "" if tag is None else "[{}{}] ".format(tag, rank))
        self._logLevelNumbers = sorted(value for value, _ in self.logLevels.values())

        global _WHITE_SPACE
        _WHITE_SPACE = " " * max(len(prefix) for _, prefix in self.logLevels.values())

        for longLogString, (logValue, shortLogString) in self.logLevels.items():
            logging.addLevelName(logValue, shortLogString)

            # expose custom levels as constants, e.g. logging.EXTRA
            if not hasattr(logging, longLogString.upper()):
                setattr(logging, longLogString.upper(), logValue)

            # and as logger methods, e.g. LOG.extra("message")
            if not hasattr(logging.Logger, longLogString):
                exec(_ADD_LOG_METHOD_STR.format(longLogString, logValue))

    def log(self, msgType, msg, single=False, label=None, **kwargs):
        """
        Wrapper around ``logger.log()`` used by all the module-level message passers.

        ``msgType`` may be a level number or one of the names in ``logLevels``.
        """
        msgLevel = msgType if isinstance(msgType, int) else self.logLevels[msgType][0]
        self.logger.log(msgLevel, str(msg), single=single, label=label)

    def getDuplicatesFilter(self):
        """Find the de-duplication filter of the main logger, if there is one."""
        if not self.logger or not isinstance(self.logger, logging.Logger):
            return None

        return self.logger.getDuplicatesFilter()

    def clearSingleWarnings(self):
        """Reset the single warned list so we get messages again."""
        dupsFilter = self.getDuplicatesFilter()
        if dupsFilter:
            dupsFilter.singleMessageCounts.clear()
            dupsFilter.singleWarningMessageCounts.clear()

    def warningReport(self):
        """Summarize all warnings for the run."""
        self.logger.warningReport()

    def getLogVerbosityRank(self, level):
        """Return integer verbosity rank given the string verbosity name."""
        try:
            return self.logLevels[level][0]
        except KeyError:
            raise KeyError(
                "{} is not a valid verbosity level: {}".format(
                    level, list(self.logLevels.keys())
                )
            )

    def setVerbosity(self, level):
        """
        Sets the minimum output verbosity for the logger.

        Parameters
        ----------
        level : int or str
            Either a key of ``logLevels`` or a number. Numbers are snapped down to the
            nearest known level, since the logging module silently drops messages at
            non-canonical levels.

        Examples
        --------
        >>> setVerbosity('debug') -> sets to 10
        >>> setVerbosity(12) -> sets to 10
        """
        if isinstance(level, str):
            self._verbosity = self.getLogVerbosityRank(level)
        elif isinstance(level, int):
            known = [n for n in self._logLevelNumbers if n <= level]
            self._verbosity = known[-1] if known else self._logLevelNumbers[0]
        else:
            raise TypeError("Invalid verbosity rank {}.".format(level))

        if self.logger is not None:
            for handler in self.logger.handlers:
                handler.setLevel(self._verbosity)
            self.logger.setLevel(self._verbosity)

    def getVerbosity(self):
        """Return the global runLog verbosity."""
        return self._verbosity

    def restoreStandardStreams(self):
        """Set the system stderr back to its default (as it was when the run started)."""
        if self.initialErr is not None and self._mpiRank > 0:
            sys.stderr = self.initialErr

    def startLog(self, name):
        """Open the case loggers for this process; workers also capture stderr."""
        self.logger = logging.getLogger(
            STDOUT_LOGGER_NAME + SEP + name + SEP + str(self._mpiRank)
        )

        # a verbosity set before the log started is applied now
        if self._verbosity != logging.INFO:
            self.setVerbosity(self._verbosity)

        if self._mpiRank != 0:
            createLogDir(LOG_DIR)
            filePath = os.path.join(
                LOG_DIR, _RunLog.STDERR_NAME.format(name, self._mpiRank)
            )
            self.stderrLogger = logging.getLogger(STDERR_LOGGER_NAME)
            h = logging.FileHandler(filePath, delay=True)
            h.setFormatter(logging.Formatter("%(message)s"))
            h.setLevel(logging.WARNING)
            self.stderrLogger.handlers = [h]
            self.stderrLogger.setLevel(logging.WARNING)

            self.initialErr = sys.stderr
            sys.stderr = self.stderrLogger


def close(mpiRank=None):
    """End use of the log. Concatenate worker logs if needed and restore defaults."""
    mpiRank = context.MPI_RANK if mpiRank is None else mpiRank

    if mpiRank == 0:
        try:
            concatenateLogs()
        except IOError as ee:
            warning("Failed to concatenate logs due to IOError.")
            error(ee)
    else:
        if LOG.stderrLogger:
            for h in LOG.stderrLogger.handlers:
                h.close()
        if LOG.logger:
            for h in LOG.logger.handlers:
                h.close()

    LOG.setNullLoggers()
    LOG.restoreStandardStreams()


def _dumpRankFile(path, rank, streamName, out):
    """Write the content of one worker file to ``out`` and delete it."""
    with open(path, "r") as logFile:
        data = logFile.read()
    if data:
        out.write(
            "\n{0} RANK {1:03d} {2} {3}\n".format("-" * 10, rank, streamName, "-" * 60)
        )
        out.write(data + "\n")
    try:
        os.remove(path)
    except OSError:
        warning("Could not delete {0}".format(path))


def concatenateLogs(logDir=None):
    """
    Concatenate the worker logs into one ``<case>-mpi.log`` and delete them.

    Should only ever be called by the primary process. Worker stderr goes to the
    primary's stderr so that crashes on neutronics or heat ranks are not buried.
    """
    logDir = LOG_DIR if logDir is None else logDir

    stdoutFiles = sorted(glob(os.path.join(logDir, "*.stdout")))
    if not stdoutFiles:
        info("No log files found to concatenate.")
        if os.path.isdir(logDir) and not os.listdir(logDir):
            os.rmdir(logDir)
        return

    info("Concatenating {0} log files".format(len(stdoutFiles)))

    caseTitle = "tandem-workers"
    prefix = STDOUT_LOGGER_NAME + "."
    for stdoutPath in stdoutFiles:
        stdoutFile = os.path.basename(stdoutPath)
        if stdoutFile.startswith(prefix):
            caseTitle = stdoutFile.split(".")[-3]
            break

    combinedLogName = os.path.join(logDir, "{}-mpi.log".format(caseTitle))
    with open(combinedLogName, "w") as workerLog:
        workerLog.write(
            "\n{0} CONCATENATED WORKER LOG FILES {1}\n".format("-" * 10, "-" * 10)
        )

        for stdoutName in stdoutFiles:
            # relies on the STDOUT_NAME format
            rank = int(stdoutName.split(".")[-2])
            _dumpRankFile(
                stdoutName, rank, "STDOUT", sys.stdout if rank == 0 else workerLog
            )

            stderrName = stdoutName[:-3] + "err"
            if os.path.exists(stderrName):
                _dumpRankFile(stderrName, rank, "STDERR", sys.stderr)


# Module-level functions that should be used for most outputs.
def raw(msg):
    """Print raw text without any special functionality."""
    LOG.log("header", msg, single=False, label=msg)


def extra(msg, single=False, label=None):
    LOG.log("extra", msg, single=single, label=label)


def debug(msg, single=False, label=None):
    LOG.log("debug", msg, single=single, label=label)


def info(msg, single=False, label=None):
    LOG.log("info", msg, single=single, label=label)


def important(msg, single=False, label=None):
    LOG.log("important", msg, single=single, label=label)


def warning(msg, single=False, label=None):
    LOG.log("warning", msg, single=single, label=label)


def error(msg, single=False, label=None):
    LOG.log("error", msg, single=single, label=label)


def header(msg, single=False, label=None):
    LOG.log("header", msg, single=single, label=label)


def warningReport():
    LOG.warningReport()


def setVerbosity(level):
    LOG.setVerbosity(level)


def getVerbosity():
    return LOG.getVerbosity()


class DeduplicationFilter(logging.Filter):
    """
    Logging filter that drops repeated ``single`` messages and indents multi-line ones.
    """

    def __init__(self, *args, **kwargs):
        logging.Filter.__init__(self, *args, **kwargs)
        self.singleMessageCounts = {}
        self.singleWarningMessageCounts = {}

    def filter(self, record):
        msg = str(record.msg)
        single = getattr(record, "single", False)
        label = getattr(record, "label", None)
        label = msg if label is None else label

        if single:
            if record.levelno in (logging.WARNING, logging.CRITICAL):
                counts = self.singleWarningMessageCounts
            else:
                counts = self.singleMessageCounts
            counts[label] = counts.get(label, 0) + 1
            if counts[label] > 1:
                return False

        record.msg = msg.rstrip().replace("\n", "\n" + _WHITE_SPACE)
        return True


class RunLogger(logging.Logger):
    """
    Logger that supports de-duplicated warnings and piping of worker stderr to a file.

    The MPI rank may be passed in the logger name after a separator,
    ``"TANDEM|caseTitle|3"``; otherwise it is taken from the context.
    """

    FMT = "%(levelname)s%(message)s"

    def __init__(self, *args, **kwargs):
        if SEP in args[0]:
            mpiRank = int(args[0].split(SEP)[-1].strip())
            args = (".".join(args[0].split(SEP)[0:2]),)
        else:
            mpiRank = context.MPI_RANK

        logging.Logger.__init__(self, *args, **kwargs)
        self.allowStopDuplicates()

        if mpiRank == 0:
            handler = logging.StreamHandler(sys.stdout)
            handler.setLevel(logging.INFO)
            self.setLevel(logging.INFO)
        else:
            filePath = os.path.join(
                LOG_DIR, _RunLog.STDOUT_NAME.format(args[0], mpiRank)
            )
            handler = logging.FileHandler(filePath, delay=True)
            handler.setLevel(logging.WARNING)
            self.setLevel(logging.WARNING)

        handler.setFormatter(logging.Formatter(RunLogger.FMT))
        self.addHandler(handler)

    def log(self, msgType, msg, single=False, label=None, **kwargs):
        """Log ``msg`` at a level number or level name, creating the log dir if needed."""
        if not os.path.exists(LOG_DIR):
            createLogDir(LOG_DIR)

        msgLevel = msgType if isinstance(msgType, int) else LOG.logLevels[msgType][0]
        logging.Logger.log(
            self, msgLevel, str(msg), extra={"single": single, "label": label}
        )

    def _log(self, *args, **kwargs):
        """
        Wrapper around ``logging.Logger._log()`` that guarantees the de-duplication data.

        The ``*args``/``**kwargs`` forwarding is required because the signature of the
        standard library method has changed between Python versions.
        """
        if "extra" not in kwargs or kwargs["extra"] is None:
            kwargs["extra"] = {}

        if "single" not in kwargs["extra"]:
            msg = args[1]
            single = kwargs.pop("single", False)
            label = kwargs.pop("label", None)
            kwargs["extra"]["single"] = single
            kwargs["extra"]["label"] = msg if label is None else label

        logging.Logger._log(self, *args, **kwargs)

    def allowStopDuplicates(self):
        """Add the de-duplication filter, once."""
        if self.getDuplicatesFilter() is None:
            self.addFilter(DeduplicationFilter())

    def write(self, msg, **kwargs):
        """Redirect target that allows stderr piping."""
        self.error(msg)

    def flush(self, *args, **kwargs):
        """Stub, purely to allow stderr piping."""
        pass

    def close(self):
        """Drop all handlers of this logger."""
        self.handlers.clear()

    def getDuplicatesFilter(self):
        for f in self.filters:
            if isinstance(f, DeduplicationFilter):
                return f

        return None

    def warningReport(self):
        """Summarize all de-duplicated warnings of the run."""
        self.info("----- Final Warning Count --------")
        self.info("  {0:^10s}   {1:^25s}".format("COUNT", "LABEL"))

        dupsFilter = self.getDuplicatesFilter()
        if dupsFilter is None or not dupsFilter.singleWarningMessageCounts:
            self.info("  {0:^10s}   {1:^25s}".format(str(0), str("None Found")))
            self.info("------------------------------------")
            return

        for label, count in sorted(
            dupsFilter.singleWarningMessageCounts.items(), key=operator.itemgetter(1)
        ):
            self.info("  {0:^10s}   {1:^25s}".format(str(count), str(label)))
        self.info("------------------------------------")

    def setVerbosity(self, intLevel):
        self.setLevel(intLevel)


class NullLogger(RunLogger):
    """
    Placeholder logger for the time before or after a case is running.

    It forwards everything to stdout/stderr while keeping the formatting and the
    de-duplication of :py:class:`RunLogger`.
    """

    def __init__(self, name, isStderr=False):
        RunLogger.__init__(self, name)
        handler = logging.StreamHandler(sys.stderr if isStderr else sys.stdout)
        handler.setFormatter(logging.Formatter(RunLogger.FMT))
        self.handlers = [handler]

    def addHandler(self, *args, **kwargs):
        """Ensure this STAYS a null logger."""
        pass


logging.RunLogger = RunLogger
logging.setLoggerClass(RunLogger)


def createLogDir(logDir: str = None) -> None:
    """Create the log directory, waiting on slow shared file systems."""
    logDir = LOG_DIR if logDir is None else logDir

    if not os.path.exists(logDir):
        try:
            os.makedirs(logDir)
        except FileExistsError:
            # another rank won the race
            return

    secondsWait = 0.5
    loopCounter = 0
    while not os.path.exists(logDir):
        loopCounter += 1
        if loopCounter > (OS_SECONDS_TIMEOUT / secondsWait):
            raise OSError("Was unable to create the log directory: {}".format(logDir))

        time.sleep(secondsWait)


def logFactory():
    """Create the default logging object."""
    return _RunLog(int(context.MPI_RANK))


LOG = logFactory()
