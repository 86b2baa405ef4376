import argparse
import os
import sys
import unittest


#### Running Tests ####
def _setupPath():
    # Make sure we're running from the main ARBOR directory
    cwd = os.getcwd()
    if os.path.basename(cwd) == "test":
        os.chdir("..")

    # Make sure main directory is in path
    cwd = os.getcwd()
    if cwd in sys.path:
        sys.path.remove(cwd)
    sys.path.insert(0, cwd)

def _stringMatch(string, exclude=None, include=None) -> bool:
    if (exclude == None and include == None) or (exclude != None and include != None):
        raise ValueError("Exactly one of include: {} and exclude: {} must not be None".format(include, exclude))

    if "test_" not in string:
        return False

    if exclude != None:
        # Check if name should be excluded
        for excludeStr in exclude:
            if excludeStr in string:
                return False

        return True

    # Check if name should be included
    for includeStr in include:
        if includeStr in string:
            return True

    return False

def runUnitTests(exclude=None, include=None):
    _setupPath()

    #### Find tests ####
    suite = unittest.TestSuite()

    if exclude == None and include == None:
        # Run all tests
        suite.addTests(unittest.defaultTestLoader.discover(start_dir="test", top_level_dir="."))

    else:
        testDirContents = [ ("test/" + x) for x in sorted(os.listdir("test")) ]
        for item in testDirContents:
            if _stringMatch(item, exclude, include):
                # If the item name matches current include/exclude rules, include it
                if os.path.isdir(item):
                    # Include from folder/package
                    suite.addTests(unittest.defaultTestLoader.discover(start_dir=item, top_level_dir="."))

                elif os.path.isfile(item) and item[-3:] == ".py":
                    # Include from file/module. Ex: "test/test_Something.py" -> "test.test_Something"
                    suite.addTests(unittest.defaultTestLoader.loadTestsFromName(item[:-3].replace("/", ".")))

    #### Run Tests ####
    runner = unittest.TextTestRunner(verbosity=3) # verbosity=3 same as running unittest -v
    return runner.run(suite)

def _runUnitTests_byLevelPresets(level):
    '''
        Level 1 Runs just the quickest tests (Excludes tests in test_SimulationRunners and test_IO)
        Level 2 Excludes tests in test_SimulationRunners
        Level 3 Runs all unittest test cases
    '''
    if level == 0:
        return None
    elif level == 1:
        return runUnitTests(exclude=["SimulationRunners", "IO"])
    elif level == 2:
        return runUnitTests(exclude=["SimulationRunners"])
    else:
        return runUnitTests()

#### Command line interface ####
def _build_Parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(formatter_class=argparse.RawTextHelpFormatter, description="""
    Convenience script for running subsets of the unittest test suite.

    Examples:
        {startGray}# Key words:{endColor}
        python test/runTests.py all                     {startGray}# All unit tests{endColor}

        {startGray}# Inclusive run:{endColor}
        python test/runTests.py Motion Multibody        {startGray}# Run unit tests from test/test_Motion and test/test_Multibody{endColor}

        {startGray}# Exclusive run:{endColor}
        python test/runTests.py --excluding IO ENV      {startGray}# Run all unit tests EXCEPT those from test/test_IO and test/test_ENV{endColor}

        {startGray}# Run by level presets:{endColor}
        python test/runTests.py 1                       {startGray}# Exclude SimulationRunners and IO{endColor}
        python test/runTests.py 2                       {startGray}# Exclude SimulationRunners{endColor}
        python test/runTests.py 3                       {startGray}# All unit tests{endColor}
    """.format(startGray="\033[90m", endColor="\033[0m")) # https://en.wikipedia.org/wiki/ANSI_escape_code#Escape_sequences

    mutexGroup = parser.add_mutually_exclusive_group()
    mutexGroup.add_argument(
        "--excluding",
        nargs='*',
        default=[],
        help="Exclude tests in packages with these parameter(s) in their names"
    )
    mutexGroup.add_argument(
        "Including",
        nargs='*',
        default=[],
        help="Only run tests from packages with these parameter(s) in their names"
    )

    return parser

def main(argv=None) -> int:
    parser = _build_Parser()
    args = parser.parse_args(argv)

    unittestResult = None

    if len(args.Including) == 1:
        if args.Including[0].lower() == "all":
            args.Including = [ "3" ]

        try:
            # Try to run tests by level preset
            level = int(args.Including[0])
            unittestResult = _runUnitTests_byLevelPresets(level)
            if unittestResult == None:
                return 0
        except ValueError:
            pass

    if unittestResult == None:
        if len(args.excluding) > 0:
            unittestResult = runUnitTests(exclude=args.excluding)
        elif len(args.Including) > 0:
            unittestResult = runUnitTests(include=args.Including)
        else:
            unittestResult = runUnitTests()

    if len(unittestResult.failures) + len(unittestResult.errors) > 0:
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
