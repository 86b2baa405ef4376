'''
Contains all of the test code to make sure the code in `ARBOR` is running properly.
Directory structure mirrors that of ARBOR.

All test/test_XXXX modules contain unit testing code for ARBOR/XXXX.
Test/Example simulation definitions are in ARBOR/Examples/Simulations
Run the tests from the repository root with: python test/runTests.py
'''
